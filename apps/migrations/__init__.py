"""Security schema migrations application package."""
