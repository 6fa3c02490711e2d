"""
Built-in modules, loadable by bare name (e.g. ``modules: [health]``).
"""
