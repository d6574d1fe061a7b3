"""Medicine reminder generation, dispatch and scheduling."""
