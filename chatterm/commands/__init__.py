"""Commands of the chatterm CLI."""
