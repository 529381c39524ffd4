"""
Storekeeper — stamina tracking and daily-reward claiming for gacha games.

Background tasks (polling, notification checks, scheduled claims) share one
AppState; the tray icon and local FastAPI server are thin shells over it.
"""
