"""
Feature modules live under this package.

Keep module boundaries clean: each module owns its routes/models/store,
while reusing platform primitives (auth, policy, audit, DB session).
"""
