"""
Storeman URLs.

Usage in the project urls.py:
    path('api/store/', include('storeman.urls')),
"""

from django.urls import path

from storeman import views

app_name = 'storeman'

urlpatterns = [
    path('availability/', views.AvailabilityView.as_view(), name='availability'),
    path('slots/', views.SlotsView.as_view(), name='slots'),
    path('bookings/', views.BookingView.as_view(), name='bookings'),
    path('admin/stock-adjustments/', views.StockAdjustmentView.as_view(), name='stock-adjustments'),
    path('admin/ledger/', views.LedgerView.as_view(), name='ledger'),
    path('admin/pickup-windows/', views.PickupWindowListView.as_view(), name='pickup-windows'),
    path('admin/pickup-windows/<int:pk>/', views.PickupWindowDetailView.as_view(), name='pickup-window'),
    path('admin/blocked-slots/', views.BlockedSlotListView.as_view(), name='blocked-slots'),
    path('admin/blocked-slots/<int:pk>/', views.BlockedSlotDetailView.as_view(), name='blocked-slot'),
    path('admin/orders/<int:pk>/status/', views.OrderStatusView.as_view(), name='order-status'),
]
