"""Record and database models."""
