"""Find exported Go symbols that nothing outside the tests uses."""
