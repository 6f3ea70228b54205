"""Collection definitions: registry, system definitions and YAML loading.

Import the submodules directly; the migration applier depends on
``basekit.collections.store`` and the registry depends on the applier.
"""
