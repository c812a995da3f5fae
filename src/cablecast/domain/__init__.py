"""
Domain layer - entities and value objects.

This layer contains the channel, filter, block and content item types,
independent of any scheduling or storage concerns.
"""
