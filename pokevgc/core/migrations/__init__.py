from pokevgc.core.migrations.runner import apply_migrations, connect

__all__ = ["apply_migrations", "connect"]
