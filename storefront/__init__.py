"""Account, catalog and order services over gRPC, GraphQL resolvers and a playground gateway."""

__version__ = "0.1.0"