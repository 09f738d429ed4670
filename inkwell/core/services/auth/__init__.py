"""Authentication strategies, outcomes and the session bridge."""
