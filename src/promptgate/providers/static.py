"""In-process profile store and feature flags, backed by plain dicts."""

from typing import Dict, Mapping, Optional, Tuple

from ..core.types import ComplianceProfile


class StaticProfileStore:
    """Organization profiles held in memory; unknown orgs return None."""

    def __init__(self, profiles: Optional[Mapping[str, ComplianceProfile]] = None):
        self.profiles: Dict[str, ComplianceProfile] = dict(profiles or {})

    async def get_profile(self, org_id: str) -> Optional[ComplianceProfile]:
        return self.profiles.get(org_id)

    def set_profile(self, org_id: str, profile: ComplianceProfile) -> None:
        self.profiles[org_id] = profile


class StaticFeatureFlags:
    """
    Feature flags with a global default.

    Lookup order: workspace override, user override, flag value, default.
    """

    def __init__(self, flags: Optional[Mapping[str, bool]] = None, default: bool = True):
        self.flags: Dict[str, bool] = dict(flags or {})
        self.default = default
        self._users: Dict[Tuple[str, str], bool] = {}
        self._workspaces: Dict[Tuple[str, str], bool] = {}

    def set_for_user(self, flag: str, user_id: str, enabled: bool) -> None:
        self._users[(flag, user_id)] = enabled

    def set_for_workspace(self, flag: str, workspace_id: str, enabled: bool) -> None:
        self._workspaces[(flag, workspace_id)] = enabled

    def is_enabled(self, flag: str, user_id: Optional[str] = None,
                   workspace_id: Optional[str] = None) -> bool:
        if workspace_id is not None and (flag, workspace_id) in self._workspaces:
            return self._workspaces[(flag, workspace_id)]
        if user_id is not None and (flag, user_id) in self._users:
            return self._users[(flag, user_id)]
        return self.flags.get(flag, self.default)
