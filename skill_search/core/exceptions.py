# 文件: skill_search/core/exceptions.py

# 自定义异常类
class SkillSearchError(Exception):
    """检索引擎异常基类"""
    pass


class StorageError(SkillSearchError):
    """记录库 I/O 或约束冲突异常（SQLite / 向量库）"""
    pass


class QueryError(SkillSearchError):
    """全文检索语法错误"""
    pass


class EncoderError(SkillSearchError):
    """向量化模型不可用或推理失败

    调用方应将其视为“向量能力不可用”，而不是整个系统的致命错误。
    """
    pass


class NetworkError(SkillSearchError):
    """注册源拉取失败（由数据源抛出，同步流程按“收到 0 条记录”处理）"""
    pass
