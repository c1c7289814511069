"""HTTP surface: dependencies, helpers and routers."""
