"""End-to-end tests running real master and worker processes."""
