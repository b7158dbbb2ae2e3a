"""chatgate — chat assistant gateway that routes messages to GitHub, search and browser tools."""
