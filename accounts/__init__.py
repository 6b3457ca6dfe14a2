"""Account verification and consistency services."""
