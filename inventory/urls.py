from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .fulfillment_views import (
    DeliveryNoteViewSet,
    PickListViewSet,
    StockRequestViewSet,
)

router = DefaultRouter()
router.register(r'stock-requests', StockRequestViewSet, basename='stock-requests')
router.register(r'delivery-notes', DeliveryNoteViewSet, basename='delivery-notes')
router.register(r'pick-lists', PickListViewSet, basename='pick-lists')

urlpatterns = [
    path('api/', include(router.urls)),
]
