"""Business services - transactional operations over an explicit session."""
