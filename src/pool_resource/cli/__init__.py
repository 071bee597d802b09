"""CLI package for pool-resource (entry points live in ``pool_resource.cli.main``)."""
