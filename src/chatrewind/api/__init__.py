"""HTTP surface for ChatRewind."""
