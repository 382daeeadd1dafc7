"""lazystream test suite."""
