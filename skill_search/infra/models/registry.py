"""
模型加载器注册表

在模块导入时注册内置加载器，使 ModelLoader 能够按类型加载模型。
"""

from .loaders import ModelLoader, ModelType, SentenceTransformerLoader


def register_default_loaders() -> None:
    """注册所有默认的模型加载器"""
    ModelLoader.register_loader(ModelType.SENTENCE_TRANSFORMER, SentenceTransformerLoader)


register_default_loaders()
