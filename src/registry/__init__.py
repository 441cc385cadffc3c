"""Registry document building and npm registry access."""
