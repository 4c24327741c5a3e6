"""Reader view: layout engine, render model, navigation state, curses frontend."""
