from dataclasses import dataclass
from skill_search.config import get_config_manager


@dataclass(frozen=True)
class VectorizationConfig:
    """向量化配置

    - 模型与批处理参数
    - preview_chars：参与向量化的 SKILL.md 前缀长度
    """

    model: str = "sentence-transformers/all-MiniLM-L6-v2"
    device: str = "auto"
    batch_size: int = 32
    preview_chars: int = 1000

    @classmethod
    def from_config_manager(cls) -> "VectorizationConfig":
        vec_cfg = get_config_manager().get_vectorization_config()
        return cls(
            model=vec_cfg.get("model", cls.model),
            device=vec_cfg.get("device", cls.device),
            batch_size=int(vec_cfg.get("batch_size", cls.batch_size)),
            preview_chars=int(vec_cfg.get("preview_chars", cls.preview_chars)),
        )
