"""Built-in CLI commands, registered on the root app by :func:`quicktoshl.app.main`."""
