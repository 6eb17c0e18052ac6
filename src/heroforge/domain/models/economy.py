from enum import Enum


class TicketKind(str, Enum):
    CREATION = "creation"
    ATTRIBUTE_SWAP = "attribute_swap"
    NAME_CHANGE = "name_change"
    WEAPON_SPECIALIZATION = "weapon_specialization"
    ARMOR_SPECIALIZATION = "armor_specialization"
