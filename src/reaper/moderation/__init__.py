"""
Moderation core.

- **action_engine.py**: The issue/withdraw/correct pipeline
- **duration.py**: Human duration parsing
- **errors.py**: ``ActionError`` taxonomy rendered by the command layer
- **platform.py**: Collaborator interfaces the engine talks to
- **discord_platform.py**: py-cord implementations of those interfaces
- **reversal.py**: Undoing a mute or ban when it stops being in force
- **embeds.py**: DM, log and reply embeds
"""
