"""
lambda-service core.

Cloud-agnostic request handling for the users/files API. Backends are
chosen in adapters/ and injected into service.router.Router.
"""
