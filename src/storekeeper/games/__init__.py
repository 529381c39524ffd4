"""
Vendor API clients.

Blocking ``requests`` clients, one per game, plus the two provider
sessions they sit on (HoYoLab, Kuro). registry.py wraps them so the async
tasks can call them off the event loop.
"""
