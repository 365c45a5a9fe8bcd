"""Demo accounts offered on the login screen and created by ``scripts/seed_demo.py``."""
from itdesk.constants.permissions import Permission, Role

DEMO_PASSWORD = 'password'

DEMO_ACCOUNTS = (
    {
        'email': 'admin@example.com',
        'name': 'Admin User',
        'role': Role.ADMIN,
        'department': 'IT Department',
        'permissions': [p for p in Permission],
    },
    {
        'email': 'john@example.com',
        'name': 'John Smith',
        'role': Role.EMPLOYEE,
        'department': 'IT Support',
        'permissions': [
            Permission.CREATE_ISSUE, Permission.EDIT_ISSUE, Permission.RESOLVE_ISSUE,
            Permission.CREATE_STOCK, Permission.EDIT_STOCK, Permission.MANAGE_STOCK_TRANSACTIONS,
            Permission.CREATE_PURCHASE_REQUEST, Permission.VIEW_REPORTS,
        ],
    },
    {
        'email': 'michael@example.com',
        'name': 'Michael Johnson',
        'role': Role.USER,
        'department': 'Marketing',
        'permissions': [Permission.CREATE_PURCHASE_REQUEST],
    },
)

DEMO_STOCK = (
    {'name': 'Dell Latitude 5420', 'category': 'Laptops', 'manufacturer': 'Dell', 'model': 'Latitude 5420',
     'quantity': 8, 'location': 'IT Storage Room', 'price': 1099.0},
    {'name': 'Logitech MX Master 3', 'category': 'Peripherals', 'manufacturer': 'Logitech', 'model': 'MX Master 3',
     'quantity': 15, 'location': 'IT Storage Room', 'price': 99.0},
    {'name': 'Dell 27" Monitor', 'category': 'Monitors', 'manufacturer': 'Dell', 'model': 'P2722H',
     'quantity': 2, 'location': 'IT Storage Room', 'price': 289.0},
    {'name': 'Cisco IP Phone', 'category': 'Networking', 'manufacturer': 'Cisco', 'model': '8841',
     'quantity': 5, 'location': 'Server Room', 'price': 210.0},
    {'name': 'USB-C Docking Station', 'category': 'Peripherals', 'manufacturer': 'Lenovo', 'model': 'ThinkPad Dock',
     'quantity': 0, 'location': 'IT Storage Room', 'price': 249.0},
)
