# Overview: Staff module keys and roles.
# Each module is defined as: (key, name, description)

ROLE_ADMIN = "admin"
ROLE_GLOBAL_ADMIN = "global_admin"
VALID_ROLES = {ROLE_ADMIN, ROLE_GLOBAL_ADMIN}


MODULE_DEFINITIONS = [
    ("dashboard", "Dashboard", "Overview counters for pending work"),
    ("order_requests", "Order Requests", "Approve or reject orders submitted through the client portal"),
    ("trips", "Trips", "Create trips and open/close them"),
    ("orders", "Orders", "Create, edit and delete orders"),
    ("clients", "Clients", "Client records and per-client price tables"),
    ("products", "Products", "Product catalog and showcase products"),
    ("finance", "Finance", "Receivables, payables and order payment status"),
    ("messages", "Messages", "Read and answer client messages"),
    ("reports", "Reports", "Sales reports and exports"),
]

ALL_MODULES = tuple(module[0] for module in MODULE_DEFINITIONS)


def get_module_definition(key):
    """Get full definition for a module key."""
    for module in MODULE_DEFINITIONS:
        if module[0] == key:
            return {
                "key": module[0],
                "name": module[1],
                "description": module[2],
            }
    return None


def filter_valid_modules(keys) -> list[str]:
    """Drop unknown module keys, keep order, remove duplicates."""
    result = []
    for key in keys:
        if key in ALL_MODULES and key not in result:
            result.append(key)
    return result
