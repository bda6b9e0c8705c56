"""Resources package for the MAAS client.

Contains a module per MAAS resource type. Each module provides a
collection, a read-only handle and the single-shot builders that issue
requests against it through a shared MAASApiClient.
"""
