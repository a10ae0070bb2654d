"""
任务异常定义

TaskError 及其子类在 worker 任务边界被捕获，reason 作为失败结果的 content 输出；
ConfigurationError 只在启动阶段抛出，进程直接退出。
"""


class TaskError(Exception):
    """单个任务失败（不会影响 worker 线程）"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class TaskParseError(TaskError):
    """任务内容无法解析或缺少必填字段"""


class ParameterError(TaskError):
    """参数校验失败（区域、方法、动作参数等）"""


class ResourceError(TaskError):
    """图像读取、截图、写文件或引擎构建失败"""


class ConfigurationError(Exception):
    """启动配置错误（缺少模型资源等），进程级致命"""
