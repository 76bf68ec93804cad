# Importing the model modules registers every table with Base.metadata
from codevault.models.snippet import Snippet, SnippetTag
from codevault.models.user import User

__all__ = ["Snippet", "SnippetTag", "User"]
