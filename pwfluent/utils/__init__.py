"""Configuration, logging and timing helpers shared by every package."""
