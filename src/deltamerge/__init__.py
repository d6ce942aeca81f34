"""deltamerge - three-way merge of a change set onto a deployment target."""

__version__ = "0.1.0"
