"""User interface builders."""
