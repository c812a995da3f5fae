"""
Runtime layer - the scheduling engine.

Content filtering and selection, schedule building, per-channel
timelines and the rolling maintenance loop.
"""
