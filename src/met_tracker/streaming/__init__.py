"""In-process async streams connecting extraction to classification."""
