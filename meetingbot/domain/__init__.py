"""Meeting status classification, formatting and the query pipeline."""
