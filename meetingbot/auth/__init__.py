"""Service account assertion minting and token exchange."""
