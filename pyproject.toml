[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "storefront"
version = "0.1.0"
description = "Account, catalog and order services for a small online shop, reachable over gRPC, with GraphQL resolvers and a playground gateway."
requires-python = ">=3.10"
keywords = ["microservices", "grpc", "graphql", "catalog", "orders", "accounts"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
]
dependencies = [
    "grpcio",
    "httpx",
    "sqlalchemy",
]

[project.optional-dependencies]
test = [
    "pytest",
    "respx",
]

[project.scripts]
storefront-account = "storefront.commands:account_main"
storefront-catalog = "storefront.commands:catalog_main"
storefront-order = "storefront.commands:order_main"
storefront-gateway = "storefront.gateway:main"

[tool.hatch.build.targets.wheel]
packages = ["storefront"]

[tool.hatch.build.targets.sdist]
include = ["storefront", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
