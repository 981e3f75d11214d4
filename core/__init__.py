"""core/ -- Configuration, database engine, and shared exceptions."""
