"""Gherkin scenarios for the token and consensus services.

Each *.feature file has a test module binding its steps with pytest-bdd.
"""
