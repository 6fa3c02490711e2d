"""
Application framework: build pipeline, HTTP layer, modules, cluster and
process lifecycle.
"""
