"""Core catalog logic: errors, document store adapter, lifecycle manager, query composer."""
