"""Glam wardrobe application bootstrap package."""
