"""Offline sync and optimistic concurrency engine for syncable entities."""

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

__version__ = "0.1.0"
