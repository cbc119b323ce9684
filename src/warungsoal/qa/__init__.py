"""Question/answer workflow that produces experience awards."""
