"""RU: Экспорт последовательности кадров стоп-моушена в видео.

EN: Stop-motion frame sequence to video export pipeline.
"""

__version__ = "0.3.0"
