# Overview: Utility functions for permission lookups and validation.

from .definitions import PERMISSION_DEFINITIONS


def get_all_permission_keys():
    """Get list of all permission keys."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permissions_by_module(module):
    """Get all permissions in a module."""
    return [perm for perm in PERMISSION_DEFINITIONS if perm[2] == module]


def get_permission_definition(key):
    """Get full definition for a permission key."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == key:
            return {
                "key": perm[0],
                "name": perm[1],
                "module": perm[2],
                "action": perm[3],
            }
    return None


def validate_permission_key(key):
    """Check if a permission key is known."""
    return key in get_all_permission_keys()


def group_by_module(permissions):
    """
    Group permission dicts by their module, preserving order.

    Accepts anything with a "module" key; returns {module: [perm, ...]}.
    """
    grouped = {}
    for perm in permissions:
        grouped.setdefault(perm["module"], []).append(perm)
    return grouped
