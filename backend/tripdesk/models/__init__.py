from .auth import User, SessionToken
from .security import SecurityEvent
from .clients import Client, ClientPrice
from .catalog import Product
from .trips import Trip
from .orders import Order, OrderItem
from .messages import Message
from .finance import FinancialEntry
from .showcase import ShowcaseProduct, HeroSlide, SiteSetting, ContactSubmission

__all__ = [
    'User', 'SessionToken', 'SecurityEvent',
    'Client', 'ClientPrice',
    'Product',
    'Trip',
    'Order', 'OrderItem',
    'Message',
    'FinancialEntry',
    'ShowcaseProduct', 'HeroSlide', 'SiteSetting', 'ContactSubmission',
]
