"""Experience, leveling and trophy-rank engine."""
