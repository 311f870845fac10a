"""Static catalog of permissionable sections, submodules and actions.
Submodule ids are stored as keys in every manager's permission document, so they must stay
globally unique and must never be renamed silently. Add new ids and backfill instead.
"""
from __future__ import annotations
from typing import Dict, List

STRUCTURE_VERSION = 1

ROLE_ADMIN = 'Admin'
ROLE_MANAGER = 'Manager'
ROLES = (ROLE_ADMIN, ROLE_MANAGER)

PERMISSION_STRUCTURE = {
    'packing': {
        'name': 'Packing Materials',
        'submodules': {
            'view-materials': {'name': 'Item Master', 'actions': ['view', 'edit', 'add', 'delete', 'view-report']},
            'outgoing-materials': {'name': 'Delivery Challan', 'actions': ['record-usage']},
            'stock-alerts': {'name': 'Stock Alerts', 'actions': ['view', 'add-stock', 'create-po']},
            'view-packing-pos': {'name': 'View POs', 'actions': ['view', 'create-po', 'cancel-po', 'view-report']},
            'manage-packing-suppliers': {'name': 'Master Supplier', 'actions': ['view', 'add', 'edit', 'delete', 'view-report']},
            'view-packing-grns': {'name': 'GRN', 'actions': ['view', 'create-grn', 'view-report']},
        },
    },
    'stock': {
        'name': 'Stock Maintenance',
        'submodules': {
            'view-raw-materials': {'name': 'Raw Materials', 'actions': ['view', 'edit', 'add', 'delete', 'view-report']},
            'jobber-unit': {'name': 'Worker Unit', 'actions': ['view-report', 'send-material', 'edit']},
            'outgoing-raw-materials': {'name': 'Delivery Challan', 'actions': ['record-usage', 'view-report']},
            'raw-stock-alerts': {'name': 'Stock Alerts', 'actions': ['view', 'add-stock', 'create-po']},
            'view-stock-pos': {'name': 'View POs', 'actions': ['view', 'create-po', 'cancel-po', 'view-report']},
            'manage-stock-suppliers': {'name': 'Master Supplier', 'actions': ['view', 'add', 'edit', 'delete', 'view-report']},
            'view-stock-grns': {'name': 'GRN', 'actions': ['view', 'create-grn', 'view-report']},
        },
    },
    'product': {
        'name': 'Product Management',
        'submodules': {
            'product-details': {'name': 'Product Details', 'actions': ['edit', 'view-report']},
            'product-dc': {'name': 'Product DC', 'actions': ['new-invoice', 'view-invoice']},
        },
    },
}

ACTION_LABELS: Dict[str, str] = {
    'view': 'View',
    'edit': 'Edit',
    'add': 'Add',
    'delete': 'Delete',
    'view-report': 'View Report',
    'record-usage': 'Record Usage',
    'add-stock': 'Add Stock',
    'create-po': 'Create PO',
    'cancel-po': 'Cancel PO',
    'create-grn': 'Create GRN',
    'new-invoice': 'New Invoice',
    'view-invoice': 'View Invoice',
    'send-material': 'Send Material',
}

# Sidebar groups. 'finished-goods' modules have no granular actions; only Admins and
# legacy module access reach them.
SIDEBAR_SECTIONS: Dict[str, List[str]] = {
    'packing': [
        'view-materials', 'outgoing-materials', 'stock-alerts',
        'view-packing-pos', 'manage-packing-suppliers', 'view-packing-grns',
    ],
    'finished-goods': ['view-fg-grns', 'view-fg-dcs', 'view-fg-invoices', 'view-fg-buyers'],
    'stock': [
        'view-raw-materials', 'jobber-unit', 'outgoing-raw-materials', 'raw-stock-alerts',
        'view-stock-pos', 'manage-stock-suppliers', 'view-stock-grns',
    ],
    'product': ['product-details', 'product-dc'],
}
