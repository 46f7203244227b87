"""
General-purpose helpers not related to the API client itself
(neither to the requests nor to the configs nor to the structs),
which are used to prepare and control the runtime environment.

Helpers do not depend on anything else in the package.
"""
