"""
Repository Inventory Data Models.

Defines the GitHub API payload shapes consumed by the miners and the flat
inventory record produced for every repository.
Uses Pydantic for validation and serialization.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Organization(BaseModel):
    """Organization entry from an organization list endpoint."""

    login: str
    id: int


class Repository(BaseModel):
    """Repository entry from an organization's repository list."""

    name: str
    private: bool = False
    archived: bool = False
    visibility: Optional[str] = None
    language: Optional[str] = None

    @property
    def visibility_label(self) -> str:
        """Visibility shown in reports: public, private or internal."""
        if self.private:
            return "internal" if self.visibility == "internal" else "private"
        return "public"


class Permissions(BaseModel):
    """Repository permission flags."""

    admin: bool = False
    maintain: bool = False
    push: bool = False
    pull: bool = False


class Collaborator(BaseModel):
    """Direct repository collaborator."""

    login: str
    ldap_dn: Optional[str] = None
    role_name: Optional[str] = None
    type: Optional[str] = None  # "User" or "Organization"
    permissions: Permissions = Field(default_factory=Permissions)


class Team(BaseModel):
    """Team with access to a repository."""

    name: str
    id: int
    slug: str
    permission: str
    permissions: Permissions = Field(default_factory=Permissions)


class PullRequest(BaseModel):
    """Open pull request summary."""

    number: int
    created_at: datetime
    state: str


class CommitAuthor(BaseModel):
    date: Optional[datetime] = None


class CommitDetail(BaseModel):
    author: Optional[CommitAuthor] = None


class Commit(BaseModel):
    """Commit entry from the commit list endpoint."""

    sha: str
    commit: CommitDetail


class RepositoryData(BaseModel):
    """Inventory record for one repository."""

    model_config = ConfigDict(frozen=True)

    organization: str
    repository: str
    visibility: str
    collaborators: str
    languages: str
    last_accessed: str
    active_prs: int
    prs_2w: int
    prs_1m: int
