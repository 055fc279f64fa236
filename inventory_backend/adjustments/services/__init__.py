# adjustments/services/__init__.py
