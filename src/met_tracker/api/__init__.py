"""HTTP surface for controlling tracking and querying activity summaries."""
