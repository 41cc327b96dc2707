"""HTTP clients for the marketplace order APIs."""
