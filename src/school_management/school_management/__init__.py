"""School Management core package.

Organized by feature modules (people, attendance, roster, fees, sequences, ...)
with a thin Flask controller layer over service/repository layers.
"""
