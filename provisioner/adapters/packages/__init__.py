"""Package adapters — pacman, community repository, AUR helper."""

from provisioner.adapters.packages.aur import AurHelperAdapter
from provisioner.adapters.packages.pacman import CommunityRepoAdapter, PacmanAdapter

__all__ = ["AurHelperAdapter", "CommunityRepoAdapter", "PacmanAdapter"]
