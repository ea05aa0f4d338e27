"""Hotel Genie: multi-source hotel search."""
