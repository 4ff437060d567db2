"""Order, driver and payout URL patterns."""

from django.urls import path

from . import admin_views, views

app_name = "orders"

urlpatterns = [
    # Cash App orders
    path("orders/create/", views.CreateCashAppOrderView.as_view(), name="create"),
    path("orders/mark-paid/", views.MarkPaidView.as_view(), name="mark-paid"),
    path("orders/submit-payment/", views.SubmitPaymentView.as_view(), name="submit-payment"),
    path("orders/change-status/", admin_views.ChangeStatusView.as_view(), name="change-status"),
    path("orders/complete/", views.CompleteOrderView.as_view(), name="complete"),
    path(
        "orders/bulk-change-status/",
        admin_views.BulkChangeStatusView.as_view(),
        name="bulk-change-status",
    ),
    path("orders/auto-cancel/", admin_views.AutoCancelView.as_view(), name="auto-cancel"),
    path("cashapp-orders/", admin_views.CashAppOrderListView.as_view(), name="cashapp-order-list"),
    path(
        "cashapp-orders/<str:short_code>/",
        views.CashAppOrderDetailView.as_view(),
        name="cashapp-order-detail",
    ),

    # Checkout
    path("place-order/", views.PlaceOrderView.as_view(), name="place-order"),
    path("orders/<uuid:order_id>/", views.OrderDetailView.as_view(), name="order-detail"),

    # Drivers and payouts
    path("drivers/", admin_views.DriverListView.as_view(), name="driver-list"),
    path("drivers/apply/", views.DriverApplicationView.as_view(), name="driver-apply"),
    path("payouts/", admin_views.PayoutListView.as_view(), name="payout-list"),
    path("payouts/mark-paid/", admin_views.MarkPayoutPaidView.as_view(), name="payout-mark-paid"),

    # Admin
    path("admin/asap-count/", admin_views.AsapCountView.as_view(), name="asap-count"),
    path("admin/tab-counts/", admin_views.TabCountsView.as_view(), name="tab-counts"),
    path("admin/kpi/", admin_views.KpiView.as_view(), name="kpi"),
    path("admin/drivers/", admin_views.AdminDriversView.as_view(), name="admin-drivers"),
    path(
        "admin/drivers/<uuid:driver_id>/",
        admin_views.AdminDriverDetailView.as_view(),
        name="admin-driver-detail",
    ),
    path(
        "admin/drivers/<uuid:driver_id>/payout/",
        admin_views.DriverPayoutView.as_view(),
        name="driver-payout",
    ),
    path(
        "admin/orders/<str:short_code>/assign-driver/",
        admin_views.AssignDriverView.as_view(),
        name="assign-driver",
    ),
]
