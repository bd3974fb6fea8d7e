from aiogram.fsm.state import State, StatesGroup


class RegisterWizard(StatesGroup):
    waiting_name = State()
    waiting_email = State()
    waiting_password = State()
    waiting_role = State()


class BookWizard(StatesGroup):
    waiting_title = State()
    waiting_author = State()
    waiting_isbn = State()
    waiting_price = State()
    waiting_quantity = State()


class DeleteConfirm(StatesGroup):
    waiting_answer = State()
