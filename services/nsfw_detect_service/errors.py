class NoImageProvidedError(ValueError):
    def __init__(self, message: str = "No image file provided"):
        super().__init__(message)


class ImageTooLargeError(ValueError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"Image file too large: {size} bytes (limit {limit})")
        self.size = size
        self.limit = limit


class ModelInitExhaustedError(RuntimeError):
    """缓存损坏类错误连续达到上限后抛出；底层原因只写日志，不向调用方暴露。"""

    def __init__(self, attempts: int):
        super().__init__(
            "Failed to initialize model after multiple attempts. "
            "Please check file permissions and try again."
        )
        self.attempts = attempts


class InferenceError(RuntimeError):
    pass
