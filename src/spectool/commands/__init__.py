"""Built-in CLI commands: ``convert``, ``inspect`` and ``config``."""
