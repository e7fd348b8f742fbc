"""Transport-free chat command surface for whitelist administration."""
