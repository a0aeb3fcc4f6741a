"""Install — write registry files into a project and install npm packages.

File writes and the package-manager install form one logical transaction:
if either phase fails, the project is restored to its prior state.
"""
