"""Persistence — save the navigation State and restore it on relaunch."""
