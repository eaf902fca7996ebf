# client_icons/core/__init__.py
