"""
Everything that talks to the API over the network.

The underlying HTTP library (``aiohttp``) is used only in this package.
Other packages only see the structs, errors, and results of the requests.
"""
