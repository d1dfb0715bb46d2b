"""
Reaper - Discord moderation bot

Reaper issues and tracks moderation actions and keeps them in force only as
long as they should be.

Core Components:

- **Action Engine**: Issues strikes, mutes, kicks and bans, escalates repeated
  strikes according to per-guild rules, and corrects or withdraws actions
- **Expiry Sweeper**: Polls the database for lapsed mutes and bans and lifts them
- **Permission Resolver**: Fine-grained command permissions granted to users
  and roles, on top of guild ownership and the administrator flag
- **Duration Parser**: Human durations such as ``30d`` or ``1d12h``

Usage:
    from reaper.main import main
    main()
"""
