"""
Asyncio kits: small primitives missing from the standard library.
"""
