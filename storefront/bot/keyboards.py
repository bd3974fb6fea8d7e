from typing import Optional

from aiogram.types import KeyboardButton, ReplyKeyboardMarkup

from storefront.constants import ROLES

def main_kb(kind: Optional[str]) -> ReplyKeyboardMarkup:
    if kind == "seller":
        rows = [
            [KeyboardButton(text="/mybooks"), KeyboardButton(text="/sales")],
            [KeyboardButton(text="/book_add"), KeyboardButton(text="/refresh")],
            [KeyboardButton(text="/help"), KeyboardButton(text="/logout")],
        ]
    elif kind == "buyer":
        rows = [
            [KeyboardButton(text="/books"), KeyboardButton(text="/cart")],
            [KeyboardButton(text="/orders"), KeyboardButton(text="/refresh")],
            [KeyboardButton(text="/help"), KeyboardButton(text="/logout")],
        ]
    else:
        rows = [
            [KeyboardButton(text="/register"), KeyboardButton(text="/help")],
        ]
    return ReplyKeyboardMarkup(keyboard=rows, resize_keyboard=True)

def role_kb() -> ReplyKeyboardMarkup:
    rows = [
        [KeyboardButton(text=code) for code in ROLES],
        [KeyboardButton(text="/cancel")],
    ]
    return ReplyKeyboardMarkup(keyboard=rows, resize_keyboard=True, one_time_keyboard=True)

def yes_no_kb() -> ReplyKeyboardMarkup:
    rows = [[KeyboardButton(text="yes"), KeyboardButton(text="no")]]
    return ReplyKeyboardMarkup(keyboard=rows, resize_keyboard=True, one_time_keyboard=True)
