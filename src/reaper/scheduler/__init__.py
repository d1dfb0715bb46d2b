"""
Scheduled work.

- **expiry_sweeper.py**: Lifts mutes and bans whose expiry has passed and
  marks them inactive. Idempotent across concurrent sweepers: a row is only
  reversed by whichever sweeper flips it from active to inactive.
"""
