"""Game domain services: deck, registry, turns, matching and the gateway.

Everything below the gateway is plain Python operating on ``Room`` objects
and can be exercised without Flask or a socket connection. The gateway is
the only piece that talks to an emitter.
"""
