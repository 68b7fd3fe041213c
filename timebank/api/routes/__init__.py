from timebank.api.routes import (
    booking,
    health,
    matching,
    messages,
    notifications,
    ratings,
    recommendations,
    transactions,
    wallet,
)

# Ресурсные роутеры, монтируются под /api и под корнем
RESOURCE_ROUTERS = [
    booking.router,
    wallet.router,
    transactions.router,
    notifications.router,
    messages.router,
    ratings.router,
    matching.router,
    recommendations.router,
]

__all__ = ["RESOURCE_ROUTERS", "health"]
