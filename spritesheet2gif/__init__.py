"""Sprite sheet to animated GIF rendering."""
