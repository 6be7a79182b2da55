"""HTTP API for rolebridge."""
