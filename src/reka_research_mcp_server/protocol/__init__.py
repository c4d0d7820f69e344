"""
MCP Protocol implementation for Reka Research MCP Server.

Message handling lives in ``handlers``, transports in ``transport`` and
message definitions in ``schemas``.
"""
