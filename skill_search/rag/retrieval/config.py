from dataclasses import dataclass
from skill_search.config import get_config_manager


@dataclass(frozen=True)
class RetrievalConfig:
    """检索配置

    - candidate_multiplier：向量召回候选数 = limit * candidate_multiplier
    - rank_step：全文回退时按名次递减的分数步长
    - clean_query：检索前是否做查询清洗
    """

    default_limit: int = 10
    candidate_multiplier: int = 2
    rank_step: float = 0.1
    clean_query: bool = True

    @classmethod
    def from_config_manager(cls) -> "RetrievalConfig":
        ret_cfg = get_config_manager().get_retrieval_config()
        return cls(
            default_limit=int(ret_cfg.get("default_limit", cls.default_limit)),
            candidate_multiplier=max(1, int(ret_cfg.get("candidate_multiplier", cls.candidate_multiplier))),
            rank_step=float(ret_cfg.get("rank_step", cls.rank_step)),
            clean_query=bool(ret_cfg.get("clean_query", cls.clean_query)),
        )
