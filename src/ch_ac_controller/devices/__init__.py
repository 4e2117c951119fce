"""Device-level building blocks: property cache, command dispatch and the AcDevice facade."""
