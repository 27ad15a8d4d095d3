"""Global cap on the number of tenant stores."""


class CapacityGuard:
    def __init__(self, max_stores: int = 50):
        self.max_stores = max_stores

    def check(self, current_count: int) -> bool:
        """True if one more store fits. Advisory only; callers may race."""
        return current_count < self.max_stores
