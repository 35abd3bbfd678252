"""Core building blocks shared by the helper modules."""
