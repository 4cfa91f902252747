"""Command-line tools for SpriteMotion."""
