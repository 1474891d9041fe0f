"""Qt-facing pieces of flowview."""
