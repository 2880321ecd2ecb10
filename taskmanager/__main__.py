"""``python -m taskmanager`` support."""

from taskmanager.main import main

main()
