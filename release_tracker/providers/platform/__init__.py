"""Concrete providers for GitHub, GitLab, Forgejo/Codeberg and SourceHut."""
