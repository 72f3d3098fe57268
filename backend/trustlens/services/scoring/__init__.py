"""Pure scoring functions: no database, no network, no clock unless passed in."""
