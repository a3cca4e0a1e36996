from lifetime.region import RID_STATIC, RegionGraph, Rid
from lifetime.pattern import EdgePattern, PatternProvider, extract_patterns

__all__ = ["RID_STATIC", "RegionGraph", "Rid", "EdgePattern", "PatternProvider", "extract_patterns"]
