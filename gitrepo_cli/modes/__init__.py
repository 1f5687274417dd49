"""Operating modes. Each module exposes register(parser) and handle(invocation, settings)."""
