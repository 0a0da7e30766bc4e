"""Shell adapters — command runner, filesystem, profile, account."""
