"""
Scheduling engine.

- Effective hours resolution (hours.py)
- Interval overlap and merging (overlap.py)
- Slot generation (slots.py)
- Working-day pattern generation (patterns.py)
- Cancellation statistics (cancellations.py)
- Client blocking decisions (blocking.py)

Everything here is pure: callers fetch rows and sample ``now`` once, then pass
them in.
"""
