from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.test import RequestFactory, TestCase
from rest_framework import status
from rest_framework.exceptions import NotAuthenticated, PermissionDenied, ValidationError
import rules

from accounts import rbac
from accounts.business_context import BusinessContextManager, RequestContext, resolve_request_context
from accounts.models import AuditLog, BusinessMembership, BusinessUnit
from accounts.permissions import check_permission
from tests.utils import add_member, create_business, create_user


class BusinessModelTest(TestCase):
    def setUp(self):
        self.owner = create_user(name='Owner')
        self.business = create_business(self.owner)

    def test_owner_membership_created(self):
        membership = BusinessMembership.objects.get(business=self.business, user=self.owner)
        self.assertEqual(membership.role, BusinessMembership.OWNER)
        self.assertEqual(self.owner.primary_business, self.business)

    def test_user_belongs_to_one_business(self):
        other = create_business(create_user(name='Other Owner'))
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                add_member(other, self.owner)

    def test_default_unit_must_belong_to_business(self):
        other = create_business(create_user(name='Other Owner'))
        foreign_unit = BusinessUnit.objects.create(business=other, name='Elsewhere', code='ELS')
        with self.assertRaises(DjangoValidationError):
            add_member(self.business, create_user(name='Staff'), default_business_unit=foreign_unit)


class BusinessContextTest(TestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.owner = create_user(name='Owner')
        self.business = create_business(self.owner)
        self.unit = BusinessUnit.objects.create(business=self.business, name='Tema', code='TEM')
        self.staff = create_user(name='Staff')
        add_member(self.business, self.staff, default_business_unit=self.unit)

    def request_for(self, user, **extra):
        request = self.factory.get('/inventory/api/stock-requests/', **extra)
        request.user = user
        return request

    def test_default_business_unit_from_membership(self):
        context = BusinessContextManager.resolve(self.request_for(self.staff))
        self.assertEqual(context, RequestContext(
            company_id=self.business.id,
            business_unit_id=self.unit.id,
            user_id=self.staff.id,
            user=self.staff,
        ))

    def test_header_overrides_default(self):
        other_unit = BusinessUnit.objects.create(business=self.business, name='Tamale', code='TAM')
        context = BusinessContextManager.resolve(
            self.request_for(self.staff, HTTP_X_BUSINESS_UNIT=str(other_unit.id))
        )
        self.assertEqual(context.business_unit_id, other_unit.id)

    def test_query_parameter_selects_unit(self):
        request = self.factory.get('/inventory/api/stock-requests/', {'business_unit': str(self.unit.id)})
        request.user = self.owner
        self.assertEqual(BusinessContextManager.resolve(request).business_unit_id, self.unit.id)

    def test_malformed_unit_rejected(self):
        with self.assertRaises(ValidationError):
            BusinessContextManager.resolve(self.request_for(self.staff, HTTP_X_BUSINESS_UNIT='tema'))

    def test_foreign_unit_denied(self):
        other = create_business(create_user(name='Other Owner'))
        foreign_unit = BusinessUnit.objects.create(business=other, name='Elsewhere', code='ELS')
        with self.assertRaises(PermissionDenied):
            BusinessContextManager.resolve(self.request_for(self.staff, HTTP_X_BUSINESS_UNIT=str(foreign_unit.id)))

    def test_inactive_unit_denied(self):
        self.unit.is_active = False
        self.unit.save()
        with self.assertRaises(PermissionDenied):
            BusinessContextManager.resolve(self.request_for(self.staff, HTTP_X_BUSINESS_UNIT=str(self.unit.id)))

    def test_user_without_membership(self):
        with self.assertRaises(PermissionDenied):
            BusinessContextManager.resolve(self.request_for(create_user(name='Drifter')))

    def test_anonymous(self):
        with self.assertRaises(NotAuthenticated):
            BusinessContextManager.resolve(self.request_for(AnonymousUser()))

    def test_context_is_memoized(self):
        request = self.request_for(self.staff)
        first = resolve_request_context(request)
        self.assertIs(resolve_request_context(request), first)


class PermissionGateTest(TestCase):
    def setUp(self):
        self.owner = create_user(name='Owner')
        self.business = create_business(self.owner)
        self.staff = create_user(name='Staff')
        add_member(self.business, self.staff, role=BusinessMembership.STAFF)

    def test_roles_per_action(self):
        for user, action, allowed in (
            (self.owner, 'approve', True),
            (self.staff, 'view', True),
            (self.staff, 'edit', True),
            (self.staff, 'approve', False),
        ):
            with self.subTest(user=user.name, action=action):
                self.assertEqual(check_permission(user, 'delivery_notes', action).allowed, allowed)

    def test_denial_carries_response(self):
        result = check_permission(self.staff, 'stock_requests', 'approve')
        self.assertEqual(result.response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn('approve stock requests', result.response.data['detail'])

    def test_anonymous_gets_401(self):
        result = check_permission(AnonymousUser(), 'pick_lists', 'view')
        self.assertEqual(result.response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_unknown_permission(self):
        with self.assertRaises(ValueError):
            check_permission(self.owner, 'invoices', 'view')

    def test_object_of_another_business(self):
        other = create_business(create_user(name='Other Owner'))
        self.assertFalse(rules.has_perm(rbac.permission_name('stock_requests', 'view'), self.owner, other))
        self.assertTrue(rules.has_perm(rbac.permission_name('stock_requests', 'view'), self.owner, self.business))

    def test_inactive_membership_denied(self):
        BusinessMembership.objects.filter(user=self.staff).update(is_active=False)
        self.assertFalse(check_permission(self.staff, 'stock_requests', 'view').allowed)


class AuditLogTest(TestCase):
    def test_record_stringifies_changes(self):
        owner = create_user(name='Owner')
        business = create_business(owner)
        context = RequestContext(company_id=business.id, business_unit_id=None, user_id=owner.id, user=owner)

        log = AuditLog.record(context=context, action='UPDATE', instance=business, quantity=3, note=None)

        self.assertEqual(log.business, business)
        self.assertEqual(log.user, owner)
        self.assertEqual(log.model_name, 'Business')
        self.assertEqual(log.object_id, business.id)
        self.assertEqual(log.changes, {'quantity': '3', 'note': None})
