"""Customer-facing labels for order statuses, types and zones."""
from __future__ import annotations

from wali.domain.order import OrderStatus, OrderType

STATUS_MESSAGES = {
    OrderStatus.PENDING: "Commande en attente de confirmation",
    OrderStatus.CONFIRMED: "Commande confirmée, recherche d'un livreur",
    OrderStatus.ASSIGNED: "Livreur assigné, préparation en cours",
    OrderStatus.PICKED_UP: "Commande récupérée, en route vers vous",
    OrderStatus.IN_TRANSIT: "Commande en transit",
    OrderStatus.DELIVERED: "Commande livrée avec succès",
    OrderStatus.CANCELLED: "Commande annulée",
    OrderStatus.FAILED: "Échec de la livraison",
}

TYPE_LABELS = {
    OrderType.DELIVERY: "Livraison Express",
    OrderType.FOOD: "Livraison de Repas",
    OrderType.SHOPPING: "Courses et Achats",
}

ZONE_LABELS = {
    "grand_abidjan": "Grand Abidjan",
}


def status_label(status: OrderStatus | str | None) -> str:
    """Return the French label for an order status."""
    if not status:
        return STATUS_MESSAGES[OrderStatus.PENDING]
    try:
        normalized = OrderStatus.normalize(status)
    except ValueError:
        return str(status)
    return STATUS_MESSAGES[normalized]


def type_label(order_type: OrderType | str) -> str:
    try:
        return TYPE_LABELS[OrderType(order_type)]
    except ValueError:
        return str(order_type)


def zone_label(zone: str | None) -> str:
    """Zone name for messages; anything outside a named zone is 'Côte d'Ivoire'."""
    if not zone:
        return "Côte d'Ivoire"
    return ZONE_LABELS.get(zone, zone)
