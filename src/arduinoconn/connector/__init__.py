"""
Connectors bind a conduit to a line sink and manage the open/close cycle of the endpoint.
"""
