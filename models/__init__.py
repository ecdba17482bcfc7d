from models.player_wallet import PlayerWallet
from models.inventory_slot import InventorySlot

__all__ = ["PlayerWallet", "InventorySlot"]
