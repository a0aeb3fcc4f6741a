"""Bundler — compile a source registry definition into a single bundle."""
