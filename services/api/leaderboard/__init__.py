"""Leaderboard API: time-windowed Top-K rankings backed by Redis sorted sets."""
