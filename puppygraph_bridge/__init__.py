"""
PuppyGraph bridge: Cypher and Gremlin access to PuppyGraph through one
request/response contract.
"""

__version__ = "1.0.0"
