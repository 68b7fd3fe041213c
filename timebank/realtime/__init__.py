# timebank/realtime/__init__.py
"""
Realtime-канал: WebSocket комнаты пользователей и бронирований.
"""

from timebank.realtime.connection_manager import ConnectionManager, manager

__all__ = ["ConnectionManager", "manager"]
