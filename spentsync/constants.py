"""Reserved system categories shipped with every installation.

System category ids are stable across devices and users, so they are valid
sync identifiers without UUID migration. Only ids in the reserved set count;
any other ``cat-`` id is a legacy id like a timestamp id.
"""

from typing import Optional

from spentsync.types import Category

SYSTEM_CATEGORIES = [
    Category(id="cat-amazon", name="Amazon", icon="Package", color="#F59E0B", group="Everyday"),
    Category(id="cat-going-out", name="Going Out", icon="Wine", color="#2563EB", group="Everyday"),
    Category(id="cat-coffee", name="Coffee & Drinks", icon="Coffee", color="#A0826D", group="Everyday"),
    Category(id="cat-food", name="Food & Dining", icon="UtensilsCrossed", color="#E76F51", group="Everyday"),
    Category(id="cat-groceries", name="Groceries", icon="ShoppingCart", color="#81B29A", group="Everyday"),
    Category(id="cat-takeout", name="Takeout / Delivery", icon="Truck", color="#0F766E", group="Everyday"),
    Category(id="cat-ent", name="Entertainment", icon="Film", color="#F4A261", group="Everyday"),
    Category(id="cat-hobbies", name="Hobbies", icon="Gamepad2", color="#27AE60", group="Everyday"),
    Category(id="cat-personal", name="Personal Care", icon="UserRound", color="#9B51E0", group="Everyday"),
    Category(id="cat-haircut-grooming", name="Haircut & Grooming", icon="Scissors", color="#EC4899", group="Everyday"),
    Category(id="cat-shopping", name="Shopping", icon="ShoppingBag", color="#3D9BE9", group="Everyday"),
    Category(id="cat-online-shopping", name="Online Shopping", icon="Globe", color="#6366F1", group="Everyday"),
    Category(id="cat-rent", name="Rent / Housing", icon="House", color="#2D9CDB", group="Home & Life"),
    Category(id="cat-util", name="Utilities", icon="Zap", color="#F2C94C", group="Home & Life"),
    Category(id="cat-internet-mobile", name="Internet & Mobile", icon="Wifi", color="#0284C7", group="Home & Life"),
    Category(id="cat-subs", name="Subscriptions", icon="Repeat", color="#BB6BD9", group="Home & Life"),
    Category(id="cat-household", name="Household", icon="Box", color="#828282", group="Home & Life"),
    Category(id="cat-furniture", name="Furniture & Decor", icon="Armchair", color="#8B4513", group="Home & Life"),
    Category(id="cat-home-maintenance", name="Home Maintenance", icon="Hammer", color="#64748B", group="Home & Life"),
    Category(id="cat-pets", name="Pets", icon="PawPrint", color="#D97706", group="Home & Life"),
    Category(id="cat-transport", name="Transport", icon="Bike", color="#E07A5F", group="Getting Around"),
    Category(id="cat-public-transit", name="Public Transit", icon="Bus", color="#2563EB", group="Getting Around"),
    Category(id="cat-ride-sharing", name="Ride Sharing", icon="CarFront", color="#7C3AED", group="Getting Around"),
    Category(id="cat-gas", name="Gas", icon="Fuel", color="#333333", group="Getting Around"),
    Category(id="cat-parking", name="Parking", icon="ParkingCircle", color="#2F80ED", group="Getting Around"),
    Category(id="cat-car", name="Car Maintenance", icon="Wrench", color="#4F4F4F", group="Getting Around"),
    Category(id="cat-travel", name="Travel", icon="Plane", color="#56CCF2", group="Getting Around"),
    Category(id="cat-health", name="Health & Medical", icon="HeartPulse", color="#EB5757", group="Health & Growth"),
    Category(id="cat-therapy-mental-health", name="Therapy & Mental Health", icon="Brain", color="#8B5CF6", group="Health & Growth"),
    Category(id="cat-fitness", name="Fitness", icon="Dumbbell", color="#27AE60", group="Health & Growth"),
    Category(id="cat-edu", name="Education", icon="GraduationCap", color="#2F80ED", group="Health & Growth"),
    Category(id="cat-insure", name="Insurance", icon="ShieldCheck", color="#2196F3", group="Money Matters"),
    Category(id="cat-bank", name="Bank Charges", icon="Landmark", color="#4F4F4F", group="Money Matters"),
    Category(id="cat-taxes", name="Taxes & Fees", icon="Receipt", color="#828282", group="Money Matters"),
    Category(id="cat-debt", name="Debt Payments", icon="Wallet", color="#6B7280", group="Money Matters"),
    Category(id="cat-credit-card-payments", name="Credit Card Payments", icon="CreditCard", color="#0F172A", group="Money Matters"),
    Category(id="cat-gifts", name="Gifts", icon="Gift", color="#F2C94C", group="Giving"),
    Category(id="cat-uncategorized", name="Uncategorized", icon="CircleHelp", color="#94A3B8", group="Other"),
]

SYSTEM_CATEGORY_IDS = frozenset(category.id for category in SYSTEM_CATEGORIES)


def is_system_category_id(category_id: Optional[str]) -> bool:
    return category_id in SYSTEM_CATEGORY_IDS
