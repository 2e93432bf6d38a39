from typing import Dict, List, Optional, Sequence
import logging
import threading

from skill_search.core.exceptions import EncoderError
from skill_search.core.models import SkillRecord
from skill_search.infra.models import ModelLoader, ModelType, LoaderConfig, resolve_device
from .config import VectorizationConfig

logger = logging.getLogger(__name__)


class Embedder:
    """文本向量化器，基于 sentence-transformers 实现。

    功能：
    - embed_batch：批量编码技能文本，输入与输出一一对应
    - embed_query：编码单条查询，与 embed_batch 使用同一模型与维度，得分才可比较
    - 模型懒加载，且通过 ModelLoader 在进程内共享，不会每次调用都重新初始化
    """

    def __init__(self, config: VectorizationConfig):
        """
        Args:
            config: VectorizationConfig 配置对象，包含模型名称、设备、批大小等参数

        说明：
            模型在首次编码时才加载，只执行 sync/show/top 等命令时不会触发模型下载
        """
        self.config = config
        self.model = None

    def _ensure_model_loaded(self) -> None:
        """
        确保模型已加载（延迟加载）

        Raises:
            EncoderError: 模型无法初始化（未安装依赖、下载失败等）
        """
        if self.model is not None:
            return
        loader_config = LoaderConfig(
            model_name=self.config.model,
            device=resolve_device(self.config.device),
            model_type=ModelType.SENTENCE_TRANSFORMER,
        )
        try:
            self.model = ModelLoader.load_model(loader_config)
        except Exception as e:
            logger.error(f"模型加载失败: {e}")
            raise EncoderError(f"无法加载向量化模型 {self.config.model}: {e}") from e
        logger.info(f"模型加载成功，向量维度: {self.model.get_sentence_embedding_dimension()}")

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """
        将文本列表转换为向量列表

        Args:
            texts: 待编码的文本列表

        Returns:
            List[List[float]]: 与输入等长、顺序一致的向量列表（已 L2 归一化）

        说明：
            - 空字符串同样会被编码，保证下标对齐
            - 按 batch_size 分批推理只影响吞吐，不影响结果
        """
        if not texts:
            return []

        self._ensure_model_loaded()
        try:
            embeddings = self.model.encode(
                [text or "" for text in texts],
                batch_size=self.config.batch_size,
                normalize_embeddings=True,  # L2 归一化
                show_progress_bar=False,
                convert_to_numpy=True,
            )
        except Exception as e:
            logger.error(f"文本编码失败: {e}")
            raise EncoderError(f"向量编码过程出错: {e}") from e

        result = [embedding.tolist() for embedding in embeddings]
        if len(result) != len(texts):
            raise EncoderError(f"向量数量与输入不一致: {len(result)} != {len(texts)}")
        logger.debug(f"成功编码 {len(result)} 个文本，向量维度: {len(result[0]) if result else 0}")
        return result

    def embed_query(self, text: str) -> List[float]:
        """编码单条查询文本"""
        return self.embed_batch([text])[0]

    def build_embed_text(self, record: SkillRecord) -> str:
        """记录参与向量化的文本：名称 + 描述 + SKILL.md 前缀"""
        preview = (record.skill_md or "")[: self.config.preview_chars]
        return f"{record.name}\n{record.description}\n{preview}"


_shared_lock = threading.Lock()
_shared_embedders: Dict[VectorizationConfig, Embedder] = {}


def get_shared_embedder(config: Optional[VectorizationConfig] = None) -> Embedder:
    """按配置返回进程内共享的 Embedder（同一配置只创建一次）"""
    config = config or VectorizationConfig.from_config_manager()
    with _shared_lock:
        embedder = _shared_embedders.get(config)
        if embedder is None:
            embedder = Embedder(config)
            _shared_embedders[config] = embedder
        return embedder
