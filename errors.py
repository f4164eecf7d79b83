"""
Ошибки данных, о которых сообщается пользователю.

Нарушения контрактов (некорректное дерево, символ без кода) проверяются
через assert и сюда не входят.
"""


class HuffmanError(ValueError):
    pass


class AlphabetTooSmallError(HuffmanError):
    pass


class InvalidCodeError(HuffmanError):
    pass


class SourceReadError(HuffmanError):
    pass


class FormatError(HuffmanError):
    pass


class IntegrityError(HuffmanError):
    pass
