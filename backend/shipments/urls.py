from django.urls import path

from .views import ShipmentCancelView, ShipmentOrderCreateView, ShipmentStatusView

urlpatterns = [
    path('shipments/', ShipmentOrderCreateView.as_view(), name='shipment-create'),
    path('shipments/<int:pk>/status', ShipmentStatusView.as_view(), name='shipment-status'),
    path('shipments/<int:pk>/cancel', ShipmentCancelView.as_view(), name='shipment-cancel'),
]
