# storefront_e2e/pages/login_page.py
from storefront_e2e.pages.base_page import BasePage

LOCKED_OUT_MESSAGE = "Epic sadface: Sorry, this user has been locked out."


class LoginPage(BasePage):
    """Storefront login form."""

    def login(self, username: str, password: str) -> None:
        self.logger.info("Logging in", username=username)
        self.fill(self.data_test("username"), username)
        self.fill(self.data_test("password"), password)
        self.click(self.data_test("login-button"))

    def is_locked_out(self) -> bool:
        return self.is_visible(f"//h3[text()='{LOCKED_OUT_MESSAGE}']")
