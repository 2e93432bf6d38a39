"""
模型加载器核心实现

提供统一的模型加载接口与进程级共享缓存：同一配置的模型只初始化一次，之后所有调用复用同一实例。
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type

from ....config import get_config_manager

logger = logging.getLogger(__name__)


class ModelType(str, Enum):
    """模型类型枚举"""
    SENTENCE_TRANSFORMER = "sentence_transformer"
    CUSTOM = "custom"


class LoaderConfig:
    """模型加载器配置

    Attributes:
        model_name (str): 模型名称或本地路径
        device (str): 设备类型，"auto" 表示自动选择
        model_type (ModelType): 模型类型
        **kwargs: 其他模型特定的参数（如 cache_folder）
    """

    def __init__(
        self,
        model_name: str,
        device: str = "auto",
        model_type: ModelType = ModelType.CUSTOM,
        **kwargs: Any
    ):
        self.model_name = model_name
        self.device = device
        self.model_type = model_type
        self.kwargs = kwargs

    def get_cache_key(self) -> Tuple[str, ...]:
        """生成缓存键：模型类型 + 名称 + 设备 + 额外参数"""
        key_parts = [self.model_type.value, self.model_name, self.device]
        if self.kwargs:
            key_parts.append(str(tuple(sorted(self.kwargs.items()))))
        return tuple(key_parts)


class ModelLoaderBase(ABC):
    """模型加载器基类，具体框架的加载器需继承此类。"""

    @abstractmethod
    def load(self, config: LoaderConfig) -> Any:
        """加载模型

        Raises:
            RuntimeError: 模型加载失败时抛出
        """

    @abstractmethod
    def get_supported_type(self) -> ModelType:
        """获取支持的模型类型"""


class ModelLoader:
    """通用模型加载器

    用处：按模型类型分发到已注册的加载器，并维护进程级 LRU 缓存。

    特性：
    - 懒加载：首次请求时才真正初始化模型
    - 加载过程持锁，保证同一模型只初始化一次
    - 缓存上限来自 cache.max_cache_size
    """

    _model_cache: Dict[Tuple[str, ...], Any] = {}
    _loaders: Dict[ModelType, Type[ModelLoaderBase]] = {}
    _lock = threading.RLock()
    _max_cache_size: Optional[int] = None

    @classmethod
    def register_loader(cls, model_type: ModelType, loader_class: Type[ModelLoaderBase]) -> None:
        """注册模型加载器

        Raises:
            TypeError: loader_class 不是 ModelLoaderBase 的子类
        """
        if not isinstance(loader_class, type) or not issubclass(loader_class, ModelLoaderBase):
            raise TypeError(f"加载器类必须继承 ModelLoaderBase: {loader_class}")
        cls._loaders[model_type] = loader_class
        logger.debug(f"已注册模型加载器: {model_type.value} -> {loader_class.__name__}")

    @classmethod
    def load_model(cls, config: LoaderConfig) -> Any:
        """加载模型（带缓存）

        Returns:
            Any: 加载的模型实例（命中缓存时返回同一对象）

        Raises:
            RuntimeError: 模型加载失败或未找到对应的加载器
        """
        cache_key = config.get_cache_key()
        with cls._lock:
            if cache_key in cls._model_cache:
                cls._touch_cache_key(cache_key)
                logger.debug(f"从缓存获取模型: {config.model_name}")
                return cls._model_cache[cache_key]

            loader_class = cls._loaders.get(config.model_type)
            if not loader_class:
                raise RuntimeError(f"未找到模型类型 '{config.model_type.value}' 的加载器")

            logger.info(f"正在加载模型: {config.model_name} (类型: {config.model_type.value}, 设备: {config.device})")
            model = loader_class().load(config)

            cls._model_cache[cache_key] = model
            cls._enforce_cache_limit()
            logger.info(f"模型加载成功并已缓存: {config.model_name}")
            return model

    @classmethod
    def _touch_cache_key(cls, key: Tuple[str, ...]) -> None:
        """将缓存键移动到末尾（LRU策略）"""
        value = cls._model_cache.pop(key)
        cls._model_cache[key] = value

    @classmethod
    def _enforce_cache_limit(cls) -> None:
        """缓存超过上限时淘汰最久未使用的模型"""
        if cls._max_cache_size is None:
            cls._max_cache_size = int(get_config_manager().get_cache_config().get("max_cache_size", 2))
        while len(cls._model_cache) > cls._max_cache_size:
            oldest_key = next(iter(cls._model_cache))
            cls._model_cache.pop(oldest_key)
            logger.debug(f"缓存已满，删除最旧模型: {oldest_key}")

    @classmethod
    def clear_cache(cls) -> None:
        """清除所有模型缓存"""
        with cls._lock:
            count = len(cls._model_cache)
            cls._model_cache.clear()
            logger.info(f"已清除 {count} 个模型缓存")

    @classmethod
    def get_cache_info(cls) -> Dict[str, Any]:
        return {
            "cache_size": len(cls._model_cache),
            "max_cache_size": cls._max_cache_size,
            "cached_models": list(cls._model_cache.keys()),
        }
