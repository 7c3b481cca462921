"""AI-assisted grading backend."""
