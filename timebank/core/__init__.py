# timebank/core/__init__.py
"""
Доменный слой: бронирования, леджер, сообщения, уведомления, оценки и подбор.
"""
