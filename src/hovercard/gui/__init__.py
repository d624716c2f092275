"""Qt user interface: link page, preview card and hover handling."""
