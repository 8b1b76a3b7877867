"""Filter, sort and pagination pipeline over in-memory records."""
