"""Django adapters of the AutoLease marketplace: models, repositories, JSON API."""
