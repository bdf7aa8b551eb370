"""Repository layer — data-access functions per table group."""
