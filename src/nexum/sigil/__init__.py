"""Identity: addresses and the signing wallet."""
