# client_icons/models/__init__.py
from .base import Base
from .client import Client
from .icon import ClientIcon, ClientIconAssignment
