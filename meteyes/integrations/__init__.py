"""HTTP clients for the Met collection API and the insight proxy."""
