"""
All the structures and value objects exchanged with the API.

Structs do not perform any I/O: they only describe, parse, and render data.
"""
