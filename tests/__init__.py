# Path: geneigs/tests/__init__.py
