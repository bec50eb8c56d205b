"""Payroll core — employees, trust-gated payroll runs, pending payments.

The employer registers employees with encrypted salaries. Each payroll
run routes every processed salary through the oblivious router:

- No live trust score: the whole salary goes into one ESCROWED record
  ("Pending employer approval").
- Expired score: the tier check raises ScoreExpired and the whole run
  reverts; the oracle must refresh the score first.
- Scored: HIGH and MEDIUM booleans come from the trust registry as
  ciphertexts, the router splits the salary three ways, and all three
  paths execute unconditionally. The instant amount is transferred at
  once (plus an INSTANT audit record); the delayed amount becomes a
  DELAYED record releasable after DELAY_PERIOD; the escrow amount
  becomes an ESCROWED record awaiting the employer. Two of the three
  carry an encrypted zero, and nothing observable says which.

A run processes at most MAX_BATCH_SIZE active employees, always starting
from the head of the roster. Inactive employees are skipped and do not
count toward the cap.

Payment lifecycle rules (see paygram.models.payroll for the state
machine):
- DELAYED: anyone may release once ``now >= release_time``.
- ESCROWED: only the employer may release.
- DELAYED / ESCROWED: only the employer may cancel (→ COMPLETED, no
  transfer).
- INSTANT, RELEASED, COMPLETED: no further action is possible.
"""

from __future__ import annotations

import dataclasses
import logging

from paygram.chain.access import Ownable2Step, non_reentrant
from paygram.chain.addresses import is_zero, to_address
from paygram.chain.runtime import Runtime, external
from paygram.errors import (
    DelayNotElapsed,
    EmployeeAlreadyExists,
    EmployeeNotActive,
    EmployeeNotFound,
    NotEmployer,
    PaymentAlreadyProcessed,
    PaymentNotFound,
    PaymentNotReleasable,
    ZeroAddress,
)
from paygram.fhe.types import Ciphertext
from paygram.ledger.token import ConfidentialToken
from paygram.models.payroll import (
    DELAY_PERIOD_SECONDS,
    LOW_TRUST_ESCROW_MILESTONE,
    MAX_BATCH_SIZE,
    OPEN_STATUSES,
    UNSCORED_ESCROW_MILESTONE,
    Employee,
    PaymentStatus,
    PendingPayment,
)
from paygram.payroll.router import route_salary
from paygram.persistence.event_log import EventKind
from paygram.trust.registry import TrustRegistry

logger = logging.getLogger(__name__)


class PayrollCore(Ownable2Step):
    """Confidential payroll engine with trust-gated disbursement.

    Usage:
        core = runtime.deploy(
            PayrollCore, owner, employer, registry.address, token.address,
            deployer=owner,
        )
        core.add_employee_plaintext(alice, 5000, "engineer", caller=employer)
        core.execute_payroll(caller=employer)
        core.release_payment(0, caller=employer)
    """

    DELAY_PERIOD = DELAY_PERIOD_SECONDS
    MAX_BATCH_SIZE = MAX_BATCH_SIZE

    def __init__(
        self,
        runtime: Runtime,
        deployer: str,
        initial_owner: str,
        employer: str,
        trust_scoring: str,
        pay_token: str,
    ) -> None:
        employer = to_address(employer)
        trust_scoring = to_address(trust_scoring)
        pay_token = to_address(pay_token)
        for label, address in (
            ("employer", employer),
            ("trust scoring", trust_scoring),
            ("pay token", pay_token),
        ):
            if is_zero(address):
                raise ZeroAddress(f"{label} cannot be the zero address")
        super().__init__(runtime, deployer, initial_owner)
        self._employer = employer
        self._trust_scoring = trust_scoring
        self._pay_token = pay_token
        self._employees: dict[str, Employee] = {}
        self._employee_list: list[str] = []
        self._payments: dict[int, PendingPayment] = {}
        self._next_payment_id = 0
        self._total_payrolls = 0
        self._entered = False

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    @property
    def employer(self) -> str:
        return self._employer

    @property
    def trust_scoring(self) -> str:
        return self._trust_scoring

    @property
    def pay_token(self) -> str:
        return self._pay_token

    @property
    def total_payrolls_executed(self) -> int:
        return self._total_payrolls

    @property
    def next_payment_id(self) -> int:
        return self._next_payment_id

    def _registry(self) -> TrustRegistry:
        return self._runtime.contract_at(self._trust_scoring)

    def _token(self) -> ConfidentialToken:
        return self._runtime.contract_at(self._pay_token)

    # ------------------------------------------------------------------
    # Employee management
    # ------------------------------------------------------------------

    @external
    def add_employee(
        self,
        wallet: str,
        encrypted_salary: str,
        proof: bytes,
        role: str,
        *,
        caller: str,
    ) -> None:
        self._only_employer(caller)
        wallet = self._require_new_wallet(wallet)
        salary = self.fhe.from_external(encrypted_salary, proof, user=caller)
        self._create_employee(wallet, salary, role)

    @external
    def add_employee_plaintext(self, wallet: str, salary: int, role: str, *, caller: str) -> None:
        self._only_employer(caller)
        wallet = self._require_new_wallet(wallet)
        self._create_employee(wallet, self.fhe.encrypt(salary), role)

    @external
    def remove_employee(self, wallet: str, *, caller: str) -> None:
        """Soft delete. The record stays, so the wallet can never be re-added."""
        self._only_employer(caller)
        employee = self._require_active(wallet)
        employee.is_active = False
        logger.info("Employee %s removed", employee.wallet)
        self._emit(EventKind.EMPLOYEE_REMOVED, wallet=employee.wallet, timestamp=self.now)

    @external
    def update_salary(
        self,
        wallet: str,
        encrypted_salary: str,
        proof: bytes,
        *,
        caller: str,
    ) -> None:
        self._only_employer(caller)
        employee = self._require_active(wallet)
        salary = self.fhe.from_external(encrypted_salary, proof, user=caller)
        self._set_salary(employee, salary)

    @external
    def update_salary_plaintext(self, wallet: str, new_salary: int, *, caller: str) -> None:
        self._only_employer(caller)
        employee = self._require_active(wallet)
        self._set_salary(employee, self.fhe.encrypt(new_salary))

    @external
    def update_employee_role(self, wallet: str, new_role: str, *, caller: str) -> None:
        self._only_employer(caller)
        employee = self._require_active(wallet)
        employee.role = new_role
        self._emit(EventKind.EMPLOYEE_UPDATED, wallet=employee.wallet, role=new_role)

    # ------------------------------------------------------------------
    # Payroll execution
    # ------------------------------------------------------------------

    @external
    @non_reentrant
    def execute_payroll(self, *, caller: str) -> int:
        """Run payroll for up to MAX_BATCH_SIZE active employees.

        Returns the number of employees processed. An empty roster is a
        valid run.
        """
        self._only_employer(caller)
        processed = 0
        for wallet in self._employee_list:
            if processed >= MAX_BATCH_SIZE:
                break
            employee = self._employees[wallet]
            if not employee.is_active:
                continue
            registry = self._registry()
            if registry.has_score(wallet):
                self._pay_scored(registry, employee)
            else:
                self._escrow(employee.wallet, employee.encrypted_salary, UNSCORED_ESCROW_MILESTONE)
            employee.last_pay_date = self.now
            processed += 1

        self._total_payrolls += 1
        logger.info(
            "Payroll run %d processed %d employee(s); next payment id %d",
            self._total_payrolls, processed, self._next_payment_id,
        )
        self._emit(
            EventKind.PAYROLL_EXECUTED,
            run=self._total_payrolls,
            employees_processed=processed,
            timestamp=self.now,
        )
        return processed

    def _pay_scored(self, registry: TrustRegistry, employee: Employee) -> None:
        wallet = employee.wallet
        is_high = registry.is_high_trust(wallet, caller=self.address)
        is_medium = registry.is_medium_trust(wallet, caller=self.address)
        amounts = route_salary(self.fhe, employee.encrypted_salary, is_high, is_medium)

        self._transfer(wallet, amounts.instant)
        instant = self._record_payment(wallet, amounts.instant, PaymentStatus.INSTANT)
        self._emit(EventKind.INSTANT_PAYMENT, payment_id=instant.payment_id, employee=wallet)

        delayed = self._record_payment(
            wallet,
            amounts.delayed,
            PaymentStatus.DELAYED,
            release_time=self.now + DELAY_PERIOD_SECONDS,
        )
        self._emit(
            EventKind.PAYMENT_DELAYED,
            payment_id=delayed.payment_id,
            employee=wallet,
            release_time=delayed.release_time,
        )

        self._escrow(wallet, amounts.escrow, LOW_TRUST_ESCROW_MILESTONE)

    def _escrow(self, wallet: str, amount: Ciphertext, milestone: str) -> None:
        payment = self._record_payment(
            wallet, amount, PaymentStatus.ESCROWED, milestone=milestone
        )
        self._emit(
            EventKind.PAYMENT_ESCROWED,
            payment_id=payment.payment_id,
            employee=wallet,
            milestone=milestone,
        )

    # ------------------------------------------------------------------
    # Pending payments
    # ------------------------------------------------------------------

    @external
    @non_reentrant
    def release_payment(self, payment_id: int, *, caller: str) -> None:
        payment = self._require_payment(payment_id)
        if payment.status == PaymentStatus.DELAYED:
            if self.now < payment.release_time:
                raise DelayNotElapsed(
                    f"Payment {payment_id} releasable at {payment.release_time}, now {self.now}"
                )
        elif payment.status == PaymentStatus.ESCROWED:
            self._only_employer(caller)
        else:
            raise PaymentNotReleasable(
                f"Payment {payment_id} is {payment.status.name}, not releasable"
            )
        self._transfer(payment.employee, payment.encrypted_amount)
        payment.transition_to(PaymentStatus.RELEASED)
        payment.settled_at = self.now
        logger.info("Payment %d released to %s", payment_id, payment.employee)
        self._emit(EventKind.PAYMENT_RELEASED, payment_id=payment_id, employee=payment.employee)

    @external
    def cancel_payment(self, payment_id: int, *, caller: str) -> None:
        self._only_employer(caller)
        payment = self._require_payment(payment_id)
        if payment.status not in OPEN_STATUSES:
            raise PaymentAlreadyProcessed(
                f"Payment {payment_id} is {payment.status.name}, cannot cancel"
            )
        payment.transition_to(PaymentStatus.COMPLETED)
        payment.settled_at = self.now
        logger.info("Payment %d cancelled", payment_id)
        self._emit(EventKind.PAYMENT_CANCELLED, payment_id=payment_id, employee=payment.employee)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_employee(self, wallet: str) -> Employee:
        employee = self._employees.get(to_address(wallet))
        if employee is None:
            raise EmployeeNotFound(f"No employee record for {wallet}")
        return dataclasses.replace(employee)

    def get_employee_list(self) -> list[str]:
        return list(self._employee_list)

    def employee_count(self) -> int:
        return len(self._employee_list)

    def active_employee_count(self) -> int:
        return sum(1 for e in self._employees.values() if e.is_active)

    def is_active_employee(self, wallet: str) -> bool:
        employee = self._employees.get(to_address(wallet))
        return employee is not None and employee.is_active

    def get_pending_payment(self, payment_id: int) -> PendingPayment:
        return dataclasses.replace(self._require_payment(payment_id))

    def get_pending_payments_for_employee(self, wallet: str) -> list[int]:
        wallet = to_address(wallet)
        return [
            pid for pid in range(self._next_payment_id)
            if self._payments[pid].employee == wallet
        ]

    def get_releasable_payments(self) -> list[int]:
        """Ids of matured DELAYED payments and all ESCROWED payments."""
        return [
            pid for pid in range(self._next_payment_id)
            if self._payments[pid].is_releasable(self.now)
        ]

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    @external
    def update_trust_scoring(self, new_trust_scoring: str, *, caller: str) -> None:
        self._only_owner(caller)
        new_trust_scoring = self._require_nonzero(new_trust_scoring, "trust scoring")
        previous, self._trust_scoring = self._trust_scoring, new_trust_scoring
        self._emit(EventKind.TRUST_SCORING_UPDATED, previous=previous, current=new_trust_scoring)

    @external
    def update_pay_token(self, new_pay_token: str, *, caller: str) -> None:
        self._only_owner(caller)
        new_pay_token = self._require_nonzero(new_pay_token, "pay token")
        previous, self._pay_token = self._pay_token, new_pay_token
        self._emit(EventKind.PAY_TOKEN_UPDATED, previous=previous, current=new_pay_token)

    @external
    def transfer_employer(self, new_employer: str, *, caller: str) -> None:
        self._only_owner(caller)
        new_employer = self._require_nonzero(new_employer, "employer")
        previous, self._employer = self._employer, new_employer
        logger.info("Employer role moved from %s to %s", previous, new_employer)
        self._emit(EventKind.EMPLOYER_TRANSFERRED, previous=previous, current=new_employer)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _only_employer(self, caller: str) -> None:
        if caller != self._employer:
            raise NotEmployer(f"{caller} is not the employer")

    @staticmethod
    def _require_nonzero(address: str, label: str) -> str:
        address = to_address(address)
        if is_zero(address):
            raise ZeroAddress(f"{label} cannot be the zero address")
        return address

    def _require_new_wallet(self, wallet: str) -> str:
        wallet = self._require_nonzero(wallet, "employee wallet")
        if wallet in self._employees:
            raise EmployeeAlreadyExists(f"Employee record already exists for {wallet}")
        return wallet

    def _require_active(self, wallet: str) -> Employee:
        employee = self._employees.get(to_address(wallet))
        if employee is None:
            raise EmployeeNotFound(f"No employee record for {wallet}")
        if not employee.is_active:
            raise EmployeeNotActive(f"Employee {employee.wallet} is not active")
        return employee

    def _require_payment(self, payment_id: int) -> PendingPayment:
        payment = self._payments.get(payment_id)
        if payment is None or payment.status == PaymentStatus.NONE:
            raise PaymentNotFound(f"No pending payment with id {payment_id}")
        return payment

    def _grant_salary(self, wallet: str, salary: Ciphertext) -> None:
        fhe = self.fhe
        fhe.allow_this(salary)
        fhe.allow(salary, self._employer)
        fhe.allow(salary, wallet)

    def _create_employee(self, wallet: str, salary: Ciphertext, role: str) -> None:
        self._grant_salary(wallet, salary)
        self._employees[wallet] = Employee(
            wallet=wallet,
            encrypted_salary=salary,
            is_active=True,
            hire_date=self.now,
            role=role,
        )
        self._employee_list.append(wallet)
        logger.info("Employee %s added (role=%s)", wallet, role)
        self._emit(EventKind.EMPLOYEE_ADDED, wallet=wallet, role=role, hire_date=self.now)

    def _set_salary(self, employee: Employee, salary: Ciphertext) -> None:
        self._grant_salary(employee.wallet, salary)
        employee.encrypted_salary = salary
        self._emit(EventKind.SALARY_UPDATED, wallet=employee.wallet, timestamp=self.now)

    def _record_payment(
        self,
        wallet: str,
        amount: Ciphertext,
        status: PaymentStatus,
        release_time: int = 0,
        milestone: str = "",
    ) -> PendingPayment:
        fhe = self.fhe
        fhe.allow_this(amount)
        fhe.allow(amount, self._employer)
        fhe.allow(amount, wallet)
        payment = PendingPayment(
            payment_id=self._next_payment_id,
            employee=wallet,
            encrypted_amount=amount,
            status=PaymentStatus.NONE,
            created_at=self.now,
            release_time=release_time,
            milestone=milestone,
        )
        payment.transition_to(status)
        self._payments[payment.payment_id] = payment
        self._next_payment_id += 1
        return payment

    def _transfer(self, to: str, amount: Ciphertext) -> Ciphertext:
        token = self._token()
        self.fhe.allow_transient(amount, token.address)
        return token.confidential_transfer(to, amount, caller=self.address)
