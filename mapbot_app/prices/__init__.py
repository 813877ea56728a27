"""Reference price data: feed, snapshot cache and the loot filter built on it."""
