"""Calendar provider client."""
