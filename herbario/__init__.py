"""Herbario API: community plant submissions with admin moderation."""
