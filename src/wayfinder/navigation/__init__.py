"""Navigation — the data model, actions, reducer, and deep-link resolver."""
